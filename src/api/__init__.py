"""
FastAPI application layer for the Ollama edge relay.

This module exposes the relay pipeline over HTTP: JSON or multipart generation
requests, a model list pass-through and a small browser page to try it out.
"""
