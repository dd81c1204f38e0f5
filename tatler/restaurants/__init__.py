"""
Restaurant directory core.

Responsibilities:
- Validate and normalize inbound restaurant records.
- Persist restaurants and their embedded grades/comments in MongoDB.
- Orchestrate one logical operation per API request.
"""
