"""
Hospital Clinical Decision Support

Rule-based pipeline turning selected symptoms into disease probabilities,
a diagnosis verdict, a treatment guideline and a prescription safety check.
"""

__version__ = "1.0.0"
