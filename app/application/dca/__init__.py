"""
DCA bounded context: application layer (use cases).
"""
