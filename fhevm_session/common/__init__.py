# Common utilities
from fhevm_session.common.crypto import CryptoUtils as CryptoUtils
from fhevm_session.common.logging_utils import setup_logger as setup_logger

__all__ = ["CryptoUtils", "setup_logger"]
