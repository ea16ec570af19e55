"""procmit – dump the exploit mitigation policies of running processes."""

__version__ = "0.1.0"
