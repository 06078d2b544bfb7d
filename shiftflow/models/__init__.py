"""
Data models for sessions, automation entities and exchange payloads.
"""
