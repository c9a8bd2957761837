from .codec import decode, decode_prefix, encode, to_printable, Value

__all__ = ['decode', 'decode_prefix', 'encode', 'to_printable', 'Value']
