"""
PMS Sync Application Layer
"""
