from rich.pretty import pprint

from bowline import *

verbose = short("v").long("verbose").help("print more while working").switch()
jobs = short("j").long("jobs").argument("N").parse(int).fallback(1).display_fallback()
target = positional("TARGET").help("what to build")

build = construct(verbose=verbose, jobs=jobs, target=target).to_options(descr="build a target")
clean = construct(verbose=verbose).to_options(descr="remove build outputs")

cli = alt(
    command("build", build).short("b"),
    command("clean", clean),
).to_options(
    descr="a tiny build tool",
    version="0.0.0",
    shell=True,
)


if __name__ == '__main__':
    pprint(cli.run())
