"""Rails Cookies Meta information.
   Rails Cookies reads and writes Rails-compatible signed and encrypted cookies.
"""
__title__ = 'rails_cookies'
__description__ = (
   'Rails Cookies reads and writes Rails-compatible signed '
   'and encrypted cookie values outside of Rails.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/rails-cookies'
