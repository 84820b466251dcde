from .firestore import FirestoreWhereCompiler, firestore_where, format_value, normalize_where_input

__all__ = (
    "FirestoreWhereCompiler",
    "firestore_where",
    "format_value",
    "normalize_where_input",
)
