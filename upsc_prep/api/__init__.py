# upsc_prep/api/__init__.py
