"""Segmented, line-aligned translation pipeline for light novels."""
