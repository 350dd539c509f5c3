"""llm-grid - broadcast one prompt to a grid of chat-agent windows."""

__version__ = "0.3.0"
