"""
Third-party service clients.
"""
