"""
API package - cross-cutting HTTP concerns (request id, error envelope).
"""
