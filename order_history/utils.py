from colored import fore, stylize

from . import settings

# pylint: disable=invalid-name


def RED(msg):
    return stylize(msg, fore("red")) if not settings.NO_COLOR else msg


def AMBER(msg):
    return stylize(msg, fore("dark_orange")) if not settings.NO_COLOR else msg


def GREEN(msg):
    return stylize(msg, fore("green")) if not settings.NO_COLOR else msg


def BLUE(msg):
    return stylize(msg, fore("blue_3a")) if not settings.NO_COLOR else msg
