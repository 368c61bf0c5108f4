"""
Catalog feed reconciliation against a Shopify store.
"""

__version__ = "0.1.0"
