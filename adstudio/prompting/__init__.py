"""Prompting package.

Deterministic prompt-construction helpers and the fixed preset catalogs. This
package does not encode images, select assets, or invoke any model.
"""
