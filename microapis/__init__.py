"""Micro APIs Collection.

A set of small HTTP endpoints wrapping third-party capabilities: Tesseract
OCR with preprocessing and remote text refinement, QR code generation,
base64/image conversion, pincode lookup, web scraping, and colour palettes.
"""
