"""
Semantic versioning for the Flux engine and its render IR.
"""

__version__ = "0.2.0"

# Render IR schema version (independent of the package version)
IR_VERSION = "0.1.0"

# Language version assumed when a document's meta block omits one
DEFAULT_LANGUAGE_VERSION = "0.1.0"
