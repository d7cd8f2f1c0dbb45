"""Domain models shared by the exam engine."""
