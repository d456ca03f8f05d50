"""バージョン情報"""

__version__ = "0.4.0"
