"""
Shared helpers: amounts, periods and logging.
"""
