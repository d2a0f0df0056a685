"""
Real-time glasses overlay.

Places a virtual pair of glasses on a face in a live camera feed, either as
a flat sprite in the image plane or as a 3D model following head pose.
"""

__version__ = "0.1.0"
