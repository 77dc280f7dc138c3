"""Local persistence for goals and progress."""
