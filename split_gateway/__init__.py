"""Transaction split allocation and settlement service"""
