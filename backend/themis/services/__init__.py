"""Services: LLM orchestration, generation and scoring."""
