"""Core module.

Configuration, logging, middleware, exceptions and monitoring shared by
both proxies.
"""
