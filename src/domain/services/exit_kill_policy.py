"""Exit-Kill判定 - 終了コードによるプロセス自動破棄の要否"""

from typing import List, Optional

from domain.models.records import AnyExitKill, CodesExitKill, ExitKill

# --exit-kill を値なしで指定したときの定数（argparseのconst）
EXIT_KILL_DEFAULT = "__default__"


def default_exit_kill() -> CodesExitKill:
    """既定の破棄ポリシー（終了コード0のみ）"""
    return CodesExitKill(frozenset({0}))


def should_tear_down(policy: Optional[ExitKill], exit_code: int) -> bool:
    """終了コードが破棄ポリシーに一致するか

    ポリシーなしは常に不一致。

    Args:
        policy: 破棄ポリシー（None可）
        exit_code: 終了コード

    Returns:
        破棄すべきならTrue
    """
    if policy is None:
        return False
    if isinstance(policy, (AnyExitKill, CodesExitKill)):
        return policy.matches(exit_code)
    raise TypeError(f"Unknown exit_kill variant: {policy!r}")


def parse_exit_kill_request(value: Optional[str]) -> Optional[ExitKill]:
    """--exit-kill 引数をポリシーに変換

    - None（未指定）      -> None
    - EXIT_KILL_DEFAULT    -> Codes({0})
    - "any"（大小無視）    -> Any
    - "0,1"               -> Codes({0, 1})（数値化できない要素は無視、全滅ならCodes({0})）

    Args:
        value: 引数値

    Returns:
        ExitKill または None
    """
    if value is None:
        return None
    if value == EXIT_KILL_DEFAULT:
        return default_exit_kill()
    if value.strip().lower() == "any":
        return AnyExitKill()

    codes: List[int] = []
    for piece in value.split(","):
        try:
            codes.append(int(piece.strip()))
        except ValueError:
            continue

    if not codes:
        return default_exit_kill()
    return CodesExitKill(frozenset(codes))
