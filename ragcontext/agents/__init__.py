"""
Language-model adapters used by the pipeline (hypothetical answers, final chat completion).
"""
