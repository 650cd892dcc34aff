from __future__ import annotations

import pytest

FILLER = "\n" + "Some words about the topic.\n" * 15 + "\n"

HELLO = """Example - printing
public class Hello {
  public static void main(String[] args) {
    System.out.println("Hi");
  }
}
Output:
Hi
"""

COUNTER = """Example 2 - loops
class Counter {
\tpublic static void main(String[] args) {
\t\tfor (int i = 0; i < 3; i++) {
\t\t\tSystem.out.println(i);
\t\t}
\t}
}
Ouput :
0
1
2
"""

BROKEN = """Example 3 - broken
class Broken {
  public static void main(String[] args) {
    int x = "a";
  }
}
This Will  give error because the types do not match.
"""

DIVIDE = """Example 4 - division
class Divide {
  static int half(int n) {
    System.out.println(n / 2);
  }
}
Output:
Compile time error: missing return statement
"""

OUTER = """Example 5 - nesting
public class Outer {
  static class Inner {
    int value = 5;
  }
  public static void main(String[] args) {
    System.out.println(new Inner().value);
  }
}
"""


@pytest.fixture
def notes_text() -> str:
    return "Java notes\n\n" + FILLER.join([HELLO, COUNTER, BROKEN, DIVIDE, OUTER, HELLO])


@pytest.fixture
def hello_code() -> str:
    return (
        "public class Hello {\n"
        "  public static void main(String[] args) {\n"
        '    System.out.println("Hi");\n'
        "  }\n"
        "}\n"
    )
