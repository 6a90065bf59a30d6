"""
FileKeep Server - Routes Package

This package contains the FastAPI routers: status, authentication and the
file manager connector.
"""
