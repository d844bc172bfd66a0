"""
PathDedup command line interface
"""
