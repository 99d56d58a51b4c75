"""On-chain Security AI Agent: backend API service and frontend shell."""

__version__ = "0.1.0"
