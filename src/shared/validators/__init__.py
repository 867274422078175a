"""Reusable field validators shared by request schemas.

- password.py: password strength rules applied at registration
"""
