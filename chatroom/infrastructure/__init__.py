"""
Infrastructure: configuration and composition root
"""
