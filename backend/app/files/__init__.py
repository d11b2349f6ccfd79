"""File relay module for FileSync.

This module accepts uploads from FileSync clients and forwards them to the
configured media-storage provider (ImageKit), and exposes thin delete and
lookup operations against the provider's API.

Nothing is stored locally: the relay holds the uploaded bytes only for the
duration of the request, and the calling room service persists the returned
FileInfo if it needs to.
"""
