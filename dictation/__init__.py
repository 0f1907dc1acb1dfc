"""
Core package for the dictation transcription pipeline.

This package contains the components used by the Cloud Functions entrypoints
to probe and transcode uploaded audio, route it to synchronous or batch
speech recognition, and turn the recognizer output into clean plain text.
"""
