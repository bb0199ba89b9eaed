# lanprobe/__init__.py
"""
lanprobe: discovers hosts on a local network and fingerprints the
AI/ML services they expose (LLM runtimes, image generators, model
servers, vector databases, GPU exporters, container daemons).
"""

__version__ = "1.0.0"
