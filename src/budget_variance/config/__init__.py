"""
Settings and account type configuration.
"""
