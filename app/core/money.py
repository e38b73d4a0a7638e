# 库内金额统一为 paise（int），只在接口输出时格式化


def format_minor(amount: int) -> str:
    """1250 -> '12.50'"""
    v = int(amount)
    sign = "-" if v < 0 else ""
    v = abs(v)
    return f"{sign}{v // 100}.{v % 100:02d}"


def format_profit_loss(stake: int, payout: int) -> str:
    pl = payout - stake if payout > 0 else -stake
    return f"{'+' if pl > 0 else ''}{format_minor(pl)}"
