import os

# point the engine at a throwaway database before config is imported
os.environ.setdefault("REX_DATABASE_URL", "sqlite:///./rex_test.db")
