"""
E3DAS - spatialized multichannel rendering with direction-dependent impulse responses.
"""

__version__ = '0.1.0'
