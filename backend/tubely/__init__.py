"""
Tubely Backend Application Package

FastAPI service that lets video owners attach media to their video records:

- Thumbnail upload to local asset storage, served under /assets
- MP4 upload with ffprobe aspect-ratio detection and an ffmpeg fast-start pass
- S3 object storage for videos, MongoDB for video records
- HS256 bearer-token authentication

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (auth, database, error taxonomy)
- models/: Pydantic data models
- services/: Upload pipelines, storage, media processing, record access
- utils/: Logging, validation and multipart helpers
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
