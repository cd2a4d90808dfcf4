"""
Context construction for a retrieval-augmented chat agent.
Scope gating, history selection and prompt assembly over precomputed embeddings.
"""

VERSION = "1.0.0"
