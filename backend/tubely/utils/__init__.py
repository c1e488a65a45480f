"""
Utilities Package for the Tubely backend application.

- file_validator: Content-type parsing, thumbnail/video type checks, asset keys
- logger: JSON/text log formatting and application-wide logging setup
- multipart: Size-bounded multipart form parsing
"""
