"""Dashboard content: LLM-backed suggestions/optimisation and demo seeding."""
