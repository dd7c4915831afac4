"""

Notes
-----
The coordinate decorators attach a `coordtype` attribute to a function.
Actions and interpolation use it to decide which coordinates are passed in.
"""
from functools import wraps

def cartesian(func):
    @wraps(func)
    def add_attribute(*args, **kwargs):
        return func(*args, **kwargs)
    add_attribute.__dict__['coordtype'] = 'cartesian'
    return add_attribute

def reference(func):
    @wraps(func)
    def add_attribute(*args, **kwargs):
        return func(*args, **kwargs)
    add_attribute.__dict__['coordtype'] = 'reference'
    return add_attribute
