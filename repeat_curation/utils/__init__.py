#!/usr/bin/env python3

"""Utility helpers for curation sessions."""
