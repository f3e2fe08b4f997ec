"""Configuration, errors, logging and security helpers for redis-session"""
