class LispError(Exception):
    """ Base class for all lispvm errors"""
    pass

class LispSyntaxError(LispError):
    """ Raised when the token stream is malformed"""

class LispEndOfInput(LispError):
    """ Raised when the input ends inside an incomplete form; more input may complete it"""

class LispCompileError(LispError):
    """ Raised when a special form is malformed"""

class LispRuntimeError(LispError):
    """ Raised when execution fails"""

class LispUnboundSymbol(LispRuntimeError):
    """ Raised when a symbol is used before it is bound"""

class LispNotCallable(LispRuntimeError):
    """ Raised when a value in call position is not a procedure"""

class LispArityError(LispRuntimeError):
    """ Raised when the number of arguments passed to a function is incorrect"""

class LispTypeError(LispRuntimeError):
    """ Raised when the types of arguments passed to a function are incorrect"""

class LispStackOverflow(LispRuntimeError):
    """ Raised when the call-frame stack exceeds its configured limit"""
