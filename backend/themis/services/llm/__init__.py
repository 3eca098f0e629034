"""
LLM orchestration: provider adapters, LLMService, prompt registry, embeddings.
"""
