"""
Clinical decision-support core: evidence, diagnosis, treatment, safety and
the diagnosis workflow.
"""
