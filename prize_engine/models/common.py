from sqlalchemy import Enum

PrizeTypes = ("discount", "gift")
DiscountTypes = ("percentage", "fixed")


def prize_type_enum():
    return Enum(*PrizeTypes, name="prize_type")


def discount_type_enum():
    return Enum(*DiscountTypes, name="discount_type")
