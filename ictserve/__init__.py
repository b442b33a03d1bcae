"""ICTServe Rules Service - rule engine behind the admin configuration pages"""

__version__ = "1.0.0"
