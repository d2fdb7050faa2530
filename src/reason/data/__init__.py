from reason.data.store import Paper, PaperStore, StoreError
