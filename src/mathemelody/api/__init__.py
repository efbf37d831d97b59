"""
Composition API: users, compositions, likes, comments and the public gallery.
"""
