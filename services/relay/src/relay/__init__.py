"""Relay in front of the Yandex Foundation Models and OpenAI APIs."""
