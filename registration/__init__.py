"""Endurance event team registration: shared code for the Lambda functions."""
