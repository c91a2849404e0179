"""
soundboard.services
~~~~~~~~~~~~~~~~~~~
Room registry, broadcast relay and supporting services.
"""
