"""
Tech transfer records desk.
Schema-driven record submission workflow for the university technology transfer office.
"""

__version__ = "1.0.0"
