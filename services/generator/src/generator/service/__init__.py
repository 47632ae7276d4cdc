"""Generation pathways, prompts and response parsing."""
