"""
defect_xai
==========

Defect prediction with post-hoc local explanations.
"""

__version__ = "0.1.0"
