"""
repositories/ - Data Access Layer
==================================
Owns the subscription collection. Only this layer mutates stored records;
services hand it replacement values.
"""
