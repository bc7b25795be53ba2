"""MDF version 4 block classes, XML comments and conversion model"""
