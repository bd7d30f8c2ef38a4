"""Services — prompts, preconditions, post-phase steps, summaries."""
