"""
Input models, loading, matching and validation.
"""
