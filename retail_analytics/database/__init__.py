"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_engine
from .models import Base, DimCustomer, DimProduct, FactSale
from .warehouse import load_snapshot

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_engine",
    "Base",
    "DimCustomer",
    "DimProduct",
    "FactSale",
    "load_snapshot",
]
