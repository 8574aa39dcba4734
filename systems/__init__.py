"""
S3-compatible storage systems and the transport builder.
"""
