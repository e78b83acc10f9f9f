"""
WifiDesk backend - customer subscriptions, billing cycles and payment tracking
for a local WiFi/internet service provider.
"""
__version__ = "1.0.0"
