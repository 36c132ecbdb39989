# CTE pendency control tower: deadline classification and status reconciliation

__version__ = "0.1.0"
