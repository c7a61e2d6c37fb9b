import os
from dotenv import load_dotenv

load_dotenv()

NVM_ENVIRONMENT = os.getenv("NVM_ENVIRONMENT", "local")
PUBLISHER_API_KEY = os.getenv("PUBLISHER_API_KEY", "MY_API_KEY")
SUBSCRIBER_API_KEY = os.getenv("SUBSCRIBER_API_KEY")
AGENT_ID = os.getenv("AGENT_ID", "agent-id")
PLAN_ID = os.getenv("PLAN_ID", "plan")

A2A_HOST = os.getenv("A2A_HOST", "localhost")
A2A_PORT = int(os.getenv("A2A_PORT", "41243"))
A2A_BASE_PATH = os.getenv("A2A_BASE_PATH", "/a2a/")
A2A_BASE_URL = os.getenv("A2A_BASE_URL", f"http://{A2A_HOST}:{A2A_PORT}{A2A_BASE_PATH}")
ASYNC_EXECUTION = os.getenv("ASYNC_EXECUTION", "false").lower() == "true"

# Access tokens issued to subscribers are signed with this secret
PAYMENTS_JWT_SECRET = os.getenv("PAYMENTS_JWT_SECRET", "your-secret-key-change-in-production")
PAYMENTS_JWT_ALGORITHM = os.getenv("PAYMENTS_JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
PLAN_INITIAL_CREDITS = int(os.getenv("PLAN_INITIAL_CREDITS", "100"))

STREAM_MESSAGE_COUNT = int(os.getenv("STREAM_MESSAGE_COUNT", "10"))
STREAM_INTERVAL_SECONDS = float(os.getenv("STREAM_INTERVAL_SECONDS", "1.0"))
PUSH_CONFIG_WAIT_SECONDS = float(os.getenv("PUSH_CONFIG_WAIT_SECONDS", "10.0"))
HANDLER_TIMEOUT_SECONDS = float(os.getenv("HANDLER_TIMEOUT_SECONDS", "60.0"))

WEBHOOK_HOST = os.getenv("WEBHOOK_HOST", "0.0.0.0")
WEBHOOK_PORT = int(os.getenv("WEBHOOK_PORT", "4000"))
WEBHOOK_URL = os.getenv("WEBHOOK_URL", f"http://localhost:{WEBHOOK_PORT}/webhook")
WEBHOOK_TOKEN = os.getenv("WEBHOOK_TOKEN", "test-token-abc")
