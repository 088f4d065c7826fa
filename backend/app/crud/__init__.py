"""
CRM model functions: thin consumers of the data access layer.

Every function takes the ``Database`` handle and the caller's
organization id explicitly.
"""
