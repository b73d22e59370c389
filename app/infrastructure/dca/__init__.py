"""
DCA bounded context: infrastructure adapters.
"""
