from typing import Annotated

from rich.pretty import pprint

from tether import *


@application(help="-?|-h|--help", shell=True, colorful=True)
class Hello:
    """
    Says hello.
    """
    Subject: Annotated[str, Option(descr="The subject")]
    Count: Annotated[int, Option(short="n")] = 1

    def on_execute(self):
        for _ in range(self.Count):
            print("Hello %s!" % (self.Subject or "world"))


if __name__ == '__main__':
    pprint(build(Hello).application.options)
    raise SystemExit(execute(Hello).code)
