"""
soundboard.core
~~~~~~~~~~~~~~~
Configuration, logging, errors and rate limiting.
"""
