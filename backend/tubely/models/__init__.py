"""
Models Package for Tubely.

    - Video: Video record with owner and asset URLs
    - VideoResponse: API representation of a video record
    - AspectRatio: landscape / portrait / other classification
"""

from tubely.models.video import AspectRatio, Video, VideoResponse


__all__ = ["AspectRatio", "Video", "VideoResponse"]
