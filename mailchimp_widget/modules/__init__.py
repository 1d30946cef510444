"""
Mailchimp Widget Modules
========================

Collection of Flask blueprint modules making up the signup widget.
"""

__all__ = ['mailchimp', 'properties', 'subscribe']
