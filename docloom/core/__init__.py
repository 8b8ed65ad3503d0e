# Lazy imports so `import docloom.core` stays cheap and targeted imports
# like `from docloom.core.config import Settings` do not pull in everything.

__all__ = [
    "Settings",
    "load_settings",
    "JavaCorpus",
    "EntryPointScanner",
    "MapperXmlIndex",
    "EntryPoint",
    "ContextAssembler",
    "ContextBundle",
    "CallGraphSlice",
    "SliceAnchor",
    "FileOutputWriter",
    "is_entity",
    "BundlePipeline",
]

_IMPORT_MAP = {
    "Settings": ".config",
    "load_settings": ".config",
    "JavaCorpus": ".corpus",
    "EntryPointScanner": ".scan",
    "MapperXmlIndex": ".scan",
    "EntryPoint": ".scan",
    "ContextAssembler": ".context",
    "ContextBundle": ".context",
    "CallGraphSlice": ".context",
    "SliceAnchor": ".context",
    "FileOutputWriter": ".context",
    "is_entity": ".context",
    "BundlePipeline": ".pipeline",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'docloom.core' has no attribute {name}")
