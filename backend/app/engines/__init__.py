"""
Engines: SQL (parameterized statements, transactions, generic CRUD builders).
"""
