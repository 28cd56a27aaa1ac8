from .fold_cmds import register as register_fold

__all__ = [
    "register_fold",
]
