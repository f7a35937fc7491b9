class OCRError(RuntimeError):
    pass
