"""Branching educational stories and quizzes from a generative text service."""
