"""CaseBase - chat with a language model, attach documents, dictate by voice."""

__version__ = "0.1.0"
