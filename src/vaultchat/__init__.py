"""vaultchat — drive an AI coding assistant CLI as a streaming subprocess."""

__version__ = "0.1.0"
