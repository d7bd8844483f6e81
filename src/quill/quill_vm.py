"""Quill Virtual Machine - executes bytecode."""

from dataclasses import dataclass, field
import logging
from typing import Any, List, Optional, Protocol, TextIO

from quill.quill_builtins import QuillBuiltinRegistry
from quill.quill_bytecode import Instruction, Opcode, QuillProgram
from quill.quill_bytecode_validator import validate_bytecode
from quill.quill_error import ErrorMessageBuilder, QuillRuntimeError
from quill.quill_symbol_table import QuillSymbol


MODULE_FRAME_NAME = "<module>"


class QuillTraceWatcher(Protocol):
    """Protocol for Quill trace watchers."""
    def on_trace(self, message: str) -> None:
        """
        Called before each instruction executes.

        Args:
            message: Program counter, instruction, operand stack and frame depth
        """


@dataclass
class Frame:
    """
    Execution frame for one function activation.

    Holds the saved return address, the argument values the caller passed, the
    callee's slots (parameters then locals) and a private operand stack.
    """
    name: str
    return_pc: int
    arguments: List[int] = field(default_factory=list)
    slots: List[int] = field(default_factory=list)
    stack: List[int] = field(default_factory=list)

    @property
    def arg_count(self) -> int:
        """Number of arguments passed to this activation."""
        return len(self.arguments)


class QuillVM:
    """
    Virtual machine for executing Quill bytecode.

    Uses a stack-based architecture with an explicit list of call frames. Every frame's
    slots start zeroed: function frames are sized from arity plus local count, the
    top-level frame from the program's top-level slot count. STORE_SLOT still grows
    a frame for hand-assembled programs that store past that size.
    """

    def __init__(self, validate: bool = True, max_call_depth: int = 1000, output: TextIO | None = None) -> None:
        """
        Initialize the VM.

        Args:
            validate: Validate bytecode before execution
            max_call_depth: Maximum number of nested user function calls
            output: Stream written by the print builtin (defaults to stdout)
        """
        self.frames: List[Frame] = []
        self.pc = 0
        self.program: QuillProgram | None = None
        self.validate_bytecode = validate
        self.max_call_depth = max_call_depth

        # Trace watcher for debugging support
        self.trace_watcher: Optional[QuillTraceWatcher] = None

        self._builtins = QuillBuiltinRegistry(output)
        self._dispatch_table = self._build_dispatch_table()
        self._logger = logging.getLogger("QuillVM")

    @property
    def stack(self) -> List[int]:
        """Operand stack of the current frame."""
        if not self.frames:
            return []

        return self.frames[-1].stack

    def set_trace_watcher(self, watcher: Optional[QuillTraceWatcher]) -> None:
        """
        Set the trace watcher (replaces any existing watcher).

        Args:
            watcher: QuillTraceWatcher instance or None to disable tracing
        """
        self.trace_watcher = watcher

    def _build_dispatch_table(self) -> List[Any]:
        """Build jump table for opcode dispatch."""
        table: List[Any] = [None] * 256
        table[Opcode.PUSH_CONSTANT] = self._op_push_constant
        table[Opcode.LOAD_SLOT] = self._op_load_slot
        table[Opcode.BIND_ARGUMENT] = self._op_bind_argument
        table[Opcode.STORE_SLOT] = self._op_store_slot
        table[Opcode.POP] = self._op_pop
        table[Opcode.BRANCH_IF_FALSE] = self._op_branch_if_false
        table[Opcode.JUMP] = self._op_jump
        table[Opcode.CALL] = self._op_call
        table[Opcode.RETURN] = self._op_return
        table[Opcode.ADD] = self._op_add
        table[Opcode.SUBTRACT] = self._op_subtract
        table[Opcode.LESS_THAN] = self._op_less_than
        return table

    def execute(self, program: QuillProgram) -> int | None:
        """
        Execute a program from its first instruction.

        Args:
            program: Compiled program to execute

        Returns:
            The value of a top-level return statement, or None if execution ran off
            the end of the program

        Raises:
            QuillRuntimeError: If execution fails; the run cannot be resumed
        """
        if self.validate_bytecode:
            validate_bytecode(program)

        self.program = program
        self.pc = 0
        self.frames = [Frame(
            MODULE_FRAME_NAME,
            return_pc=len(program.instructions),
            slots=[0] * program.top_level_slot_count
        )]

        self._logger.debug("Executing %s (%d instructions)", program.source_file or "<program>", len(program))

        instructions = program.instructions
        dispatch = self._dispatch_table

        while self.pc < len(instructions):
            instr = instructions[self.pc]
            frame = self.frames[-1]

            if self.trace_watcher is not None:
                self._emit_trace(frame, instr)

            # Increment pc before executing (so jumps and calls can override)
            self.pc += 1

            handler = dispatch[instr.opcode]
            if handler is None:
                raise self._error(f"Unimplemented opcode: {instr.opcode}", instr)

            result = handler(frame, instr)
            if result is not None:
                # Top-level RETURN halts the program
                self._logger.debug("Program returned %d", result)
                return result

        self._logger.debug("Program finished with %d values on the stack", len(self.stack))
        return None

    def _emit_trace(self, frame: Frame, instr: Instruction) -> None:
        """Report the instruction about to execute to the trace watcher."""
        assert self.trace_watcher is not None
        self.trace_watcher.on_trace(f"{self.pc:4d}: {instr!r:<24} stack={frame.stack} frames={len(self.frames)}")

    def _op_push_constant(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """PUSH_CONSTANT: Push a literal integer."""
        frame.stack.append(instr.arg1)
        return None

    def _op_load_slot(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """LOAD_SLOT: Push the value of a parameter or local slot."""
        offset = instr.arg1
        if not 0 <= offset < len(frame.slots):
            raise self._error(
                f"Slot offset {offset} out of range",
                instr,
                received=f"Frame '{frame.name}' has {len(frame.slots)} slots"
            )

        frame.stack.append(frame.slots[offset])
        return None

    def _op_bind_argument(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """BIND_ARGUMENT: Copy an argument passed by the caller into its parameter slot."""
        slot = instr.arg1
        index = frame.arg_count + instr.arg2
        if not 0 <= index < frame.arg_count:
            raise self._error(
                f"Argument offset {instr.arg2} out of range",
                instr,
                received=f"Frame '{frame.name}' was passed {frame.arg_count} arguments"
            )

        if not 0 <= slot < len(frame.slots):
            raise self._error(
                f"Slot offset {slot} out of range",
                instr,
                received=f"Frame '{frame.name}' has {len(frame.slots)} slots"
            )

        frame.slots[slot] = frame.arguments[index]
        return None

    def _op_store_slot(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """STORE_SLOT: Pop into a slot, zero-filling any slots that do not exist yet."""
        slot = instr.arg1
        if slot < 0:
            raise self._error(f"Slot offset {slot} out of range", instr)

        value = self._pop(frame, instr)
        if slot >= len(frame.slots):
            frame.slots.extend([0] * (slot + 1 - len(frame.slots)))

        frame.slots[slot] = value
        return None

    def _op_pop(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """POP: Discard the top of stack."""
        self._pop(frame, instr)
        return None

    def _op_branch_if_false(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """BRANCH_IF_FALSE: Pop stack, jump if zero."""
        condition = self._pop(frame, instr)
        if condition == 0:
            self.pc = self._resolve(instr).location

        return None

    def _op_jump(  # pylint: disable=useless-return
        self,
        _frame: Frame,
        instr: Instruction
    ) -> int | None:
        """JUMP: Unconditional jump to a label."""
        self.pc = self._resolve(instr).location
        return None

    def _op_call(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """CALL: Call a builtin or user function with arguments from the stack."""
        name = instr.target
        argument_count = instr.arg1
        if len(frame.stack) < argument_count:
            raise self._error(
                "Stack underflow",
                instr,
                received=f"Call to '{name}' needs {argument_count} arguments, stack holds {len(frame.stack)}"
            )

        # Slice gets args in source order, then delete them from the stack
        args = frame.stack[len(frame.stack) - argument_count:]
        del frame.stack[len(frame.stack) - argument_count:]

        if isinstance(name, str) and self._builtins.is_builtin(name):
            frame.stack.append(self._builtins.call(name, args))
            return None

        symbol = self._resolve(instr)
        if argument_count != symbol.arity:
            plural = "s" if symbol.arity != 1 else ""
            raise self._error(
                f"Function '{name}' expects {symbol.arity} argument{plural}, got {argument_count}",
                instr
            )

        if len(self.frames) > self.max_call_depth:
            raise self._error(
                f"Maximum call depth exceeded ({self.max_call_depth})",
                instr,
                suggestion="Check that recursive functions reach their base case"
            )

        self.frames.append(Frame(
            name=str(name),
            return_pc=self.pc,
            arguments=args,
            slots=[0] * (symbol.arity + symbol.local_count)
        ))
        self.pc = symbol.location
        return None

    def _op_return(
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """RETURN: Pop the return value, drop the frame, and push the value for the caller."""
        value = self._pop(frame, instr)

        if len(self.frames) == 1:
            return value

        self.frames.pop()
        self.pc = frame.return_pc
        self.frames[-1].stack.append(value)
        return None

    def _op_add(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """ADD: left + right."""
        right = self._pop(frame, instr)
        left = self._pop(frame, instr)
        frame.stack.append(left + right)
        return None

    def _op_subtract(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """SUBTRACT: left - right."""
        right = self._pop(frame, instr)
        left = self._pop(frame, instr)
        frame.stack.append(left - right)
        return None

    def _op_less_than(  # pylint: disable=useless-return
        self,
        frame: Frame,
        instr: Instruction
    ) -> int | None:
        """LESS_THAN: 1 if left < right else 0."""
        right = self._pop(frame, instr)
        left = self._pop(frame, instr)
        frame.stack.append(1 if left < right else 0)
        return None

    def _pop(self, frame: Frame, instr: Instruction) -> int:
        """Pop the current frame's operand stack, failing on underflow."""
        if not frame.stack:
            raise self._error("Stack underflow", instr, received=f"{instr!r} found an empty stack in '{frame.name}'")

        return frame.stack.pop()

    def _resolve(self, instr: Instruction) -> QuillSymbol:
        """Resolve an instruction's label or function target."""
        assert self.program is not None
        target = instr.target
        symbol = self.program.symbols.resolve(target) if target is not None else None
        if symbol is None:
            raise self._error(
                f"Unresolved symbol: '{target}'",
                instr,
                suggestion=ErrorMessageBuilder.did_you_mean(
                    str(target),
                    self.program.symbols.function_names(),
                    "Check that the function is declared"
                )
            )

        return symbol

    def _format_stack_trace(self, max_frames: int = 10) -> str:
        """
        Format the active frames for error messages, outermost first.

        Args:
            max_frames: Maximum number of frames to include

        Returns:
            Formatted stack trace string
        """
        lines = []
        frames_to_show = self.frames[-max_frames:]
        if len(self.frames) > max_frames:
            lines.append(f"  ... ({len(self.frames) - max_frames} more frames)")

        for i, frame in enumerate(frames_to_show):
            indent = "  " + "  " * i
            if frame.name == MODULE_FRAME_NAME:
                lines.append(f"{indent}{frame.name}")
                continue

            args_str = ", ".join(str(arg) for arg in frame.arguments)
            lines.append(f"{indent}{frame.name}({args_str})")

        return "\n".join(lines)

    def _error(self, message: str, instr: Instruction, received: str | None = None,
               suggestion: str | None = None) -> QuillRuntimeError:
        """Build a runtime error for the instruction that just failed."""
        return QuillRuntimeError(
            message=message,
            received=received,
            suggestion=suggestion,
            context=f"At instruction {self.pc - 1}: {instr!r}\nCall stack:\n{self._format_stack_trace()}",
            line=instr.line
        )

    def __repr__(self) -> str:
        return f"QuillVM(pc={self.pc}, frames={len(self.frames)})"
