"""
pg-payments - card payment orchestration over external PGs with
cursor-paginated payment history.
"""
__version__ = "1.0.0"
