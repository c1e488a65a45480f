"""
Services module for the Tubely backend application.

- upload_service: Thumbnail and video upload pipelines
- storage_service: S3 object storage and local asset storage
- media_service: ffprobe geometry probing and ffmpeg fast-start rewriting
- video_service: Video record lookup and update

Services are wired together through FastAPI's dependency system.
"""
