"""Veoworks Video Generator: FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request/response
models, and the uploaded-image bookkeeping.

Modules
-------
main
    FastAPI application factory, route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
uploads
    In-memory store of uploaded reference images and their previews.
"""
