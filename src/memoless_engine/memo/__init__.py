from .parser import (
    MemoKind,
    MemoRewrite,
    ParsedMemo,
    extract_user_input,
    has_affiliate_info,
    inject_affiliate,
    parse_memo,
    replace_user_input,
    try_inject_affiliate,
)

__all__ = [
    "MemoKind",
    "MemoRewrite",
    "ParsedMemo",
    "extract_user_input",
    "has_affiliate_info",
    "inject_affiliate",
    "parse_memo",
    "replace_user_input",
    "try_inject_affiliate",
]
