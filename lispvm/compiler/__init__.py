"""Bytecode compiler and virtual machine.

Submodules are imported directly (``lispvm.compiler.compiler``,
``lispvm.compiler.vm``); the value model imports ``function`` from here, so this
package module stays import-free.
"""
