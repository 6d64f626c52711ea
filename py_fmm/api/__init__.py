"""
HTTP API for the fast marching service.
"""
