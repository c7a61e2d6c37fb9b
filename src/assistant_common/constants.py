# The agent only speaks plain text.
TEXT_MEDIA_TYPE = "text/plain"
JSON_MEDIA_TYPE = "application/json"

AGENT_NAME = "AI Assistant"
AGENT_VERSION = "2.0.0"
PROVIDER_ORGANIZATION = "Nevermined"
PROVIDER_URL = "https://nevermined.io"

AGENT_CARD_PATH = ".well-known/agent-card.json"

# JSON-RPC methods exposed by the agent endpoint
METHOD_MESSAGE_SEND = "message/send"
METHOD_MESSAGE_STREAM = "message/stream"
METHOD_TASKS_GET = "tasks/get"
METHOD_SET_PUSH_CONFIG = "tasks/pushNotificationConfig/set"

# Methods that consume credits and therefore need a bearer token
PAID_METHODS = frozenset({METHOD_MESSAGE_SEND, METHOD_MESSAGE_STREAM})

# Metadata keys shared by handlers, executor and the credit-burning step
CREDITS_USED_KEY = "creditsUsed"
PLAN_ID_KEY = "planId"
BEARER_TOKEN_KEY = "bearerToken"
ERROR_TYPE_KEY = "errorType"
PROCESSING_ERROR = "processing_error"
AGENT_ERROR = "agent_error"

PAYMENT_EXTENSION_URI = "urn:nevermined:payment"
NOTIFICATION_TOKEN_HEADER = "X-A2A-Notification-Token"
