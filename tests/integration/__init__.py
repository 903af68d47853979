"""Integration tests for components working together as a system.

Coverage:
    - Full turns from prompt to chat log through RequestSession
    - Upload and patch calls
    - Local API endpoints with real HTTP requests
"""
