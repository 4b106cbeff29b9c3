"""Helpers shared by the routes and services: validation, messages, mail, audit."""
