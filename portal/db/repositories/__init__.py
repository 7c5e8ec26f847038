"""
Per-domain repository modules for database access.

Each module exposes plain functions taking a Session as first argument;
services and routers compose them.
"""
