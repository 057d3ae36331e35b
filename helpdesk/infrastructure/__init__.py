"""
Infrastructure Layer
=====================

Application-wide technical concerns (database engine and sessions).
"""
