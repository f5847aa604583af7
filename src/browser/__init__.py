# src/browser/__init__.py — v1
