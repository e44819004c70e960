"""
Legacy Portal web application.

This package provides a FastAPI application that renders the legacy
leaders directory, profile pages, forum and blog on top of a hosted
Supabase data gateway.
"""
