"""
Common utilities package for the timeline events application.

Utility modules supporting event generation:
- logger: console and rotating file logging
- json_scanner / json_parser: recovery of JSON from raw LLM output
"""
