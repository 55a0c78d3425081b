"""
Pydantic models for API request/response schemas.

The relay envelope itself ({"response": ...}) lives with the pipeline types;
these are the shapes only the HTTP layer produces.
"""
