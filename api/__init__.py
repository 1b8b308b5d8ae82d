"""
HTTP layer of the Photo Capture Server
"""
