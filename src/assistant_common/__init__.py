"""Configuration, logging and JSON-RPC helpers shared by the agent and its clients."""
