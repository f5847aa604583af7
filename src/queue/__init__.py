# src/queue/__init__.py — v1
