from .api import CorpusStore, make_store, open_store, remove_store_files

__all__ = ["CorpusStore", "make_store", "open_store", "remove_store_files"]
