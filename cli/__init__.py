"""
Command line interface and run coordinator for the object read benchmark.
"""
