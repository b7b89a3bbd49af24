# conciliation/__init__.py
