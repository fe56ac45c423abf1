"""Container entrypoint for Wazuh manager and agent images"""

__version__ = "0.1.0"
