"""
Storage layer.

Responsibilities:
- Hold MongoDB connection settings.
- Create, verify and close the process-wide MongoClient.
"""
