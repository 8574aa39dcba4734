"""
Read algorithms: the timed object reader and the per-shard worker loop.
"""
