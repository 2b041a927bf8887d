"""
Row store: sheet-like collections with header-defined columns.
"""
