"""
HVAC CRM report engine
"""
__version__ = "1.0.0"
