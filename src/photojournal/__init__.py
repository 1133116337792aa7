"""
photojournal - Personal photo journal web application

Authenticated users upload images, browse a per-user gallery and manage
stored memories:
- Owner-scoped image storage in Google Cloud Storage
- Batch uploads with bounded concurrency and itemized results
- Gallery reconciliation after every upload or delete
- Cloud IAP authentication
"""

__version__ = "0.1.0"
__author__ = "photojournal"
__description__ = "Personal photo journal web application"
