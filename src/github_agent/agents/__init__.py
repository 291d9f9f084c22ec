"""Repository agents: analyzer, todo generator and chat assistant."""
