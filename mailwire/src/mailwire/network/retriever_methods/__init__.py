"""Built-in retriever methods: ``pop3``, ``imap`` and ``test``."""

from .imap import IMAP
from .pop3 import POP3
from .test_retriever import TestRetriever

__all__ = ["IMAP", "POP3", "TestRetriever"]
