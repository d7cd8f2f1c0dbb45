"""
Adaptive Exam Engine Backend

This package serves exams in three delivery mechanisms:
1. Static rooms walking a preset question list
2. Random rooms sampling a per-student question map from a filtered pool
3. Rule-based rooms walking a cognitive level x difficulty lattice, with a
   smoothed ability score and stopping rules
"""
