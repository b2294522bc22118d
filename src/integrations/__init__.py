"""
Clients for services outside AWS.
"""
