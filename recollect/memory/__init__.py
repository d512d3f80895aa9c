from recollect.memory.manager import MemoryStoreManager
from recollect.memory.parser import REMEMBER_PATTERNS, parse_remember_command

__all__ = ["MemoryStoreManager", "REMEMBER_PATTERNS", "parse_remember_command"]
