"""
Tubely API Package.

Package Structure:
    - v1/: Version 1 API endpoints
        - videos.py: Thumbnail and video uploads, video record reads

All endpoints are versioned under the /api/v1 URL prefix.
"""
