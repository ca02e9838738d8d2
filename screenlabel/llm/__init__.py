"""Chat-completion clients, prompts and structured-reply extraction."""
