"""
soundboard.api
~~~~~~~~~~~~~~
HTTP and WebSocket routers.
"""
