"""Test package for buildstamp."""
