"""
Retail Warehouse Analytics

Customer, product and trend reporting over a retail star schema.
"""

__version__ = "1.0.0"
