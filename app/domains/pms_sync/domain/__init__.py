"""
PMS Sync Domain Layer
"""
