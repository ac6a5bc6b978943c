"""
Images Service

Downloads organization logos, identifies their real format from magic
numbers and stores them in the logo bucket.
"""
