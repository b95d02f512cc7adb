#Marks scripts as a package so the simulation can import the mock generator.
#Run from the repo root: python -m scripts.run_assignment_simulation
